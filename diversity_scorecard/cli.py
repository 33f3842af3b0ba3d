"""
Clinical Trial Diversity Scorecard — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (DB init, grading, report lookup, similarity search).
  5. Report result to stdout.

Install and run::

    pip install -e .
    diversity-scorecard --help
    diversity-scorecard init-db
    diversity-scorecard validate-config
    diversity-scorecard benchmarks --category race
    diversity-scorecard grade submission.json
    diversity-scorecard report <scorecard-id>
    diversity-scorecard similar <scorecard-id> --threshold 0.8
    diversity-scorecard history
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="diversity-scorecard",
    help="Clinical trial diversity scorecard — grading, similarity search, and reports.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from diversity_scorecard.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from diversity_scorecard.utils.logging import configure_logging
    configure_logging(config.logging)


def _open_db(config, db_path: Optional[str] = None):
    from diversity_scorecard.db.connection import get_connection

    return get_connection(
        db_path or config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    )


def _close_quietly(*clients) -> None:
    for client in clients:
        close = getattr(client, "close", None)
        if close is not None:
            close()


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config (e.g. data/db/test.db).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Initialize the SQLite database and apply the schema.

    Safe to run multiple times — all DDL uses IF NOT EXISTS.
    """
    from diversity_scorecard.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with _open_db(config, target_path) as conn:
        apply_schema(conn)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:      {config.database.db_path}")
    typer.echo(f"  Strict benchmarks:  {config.scoring.strict_benchmarks}")
    typer.echo(f"  Embeddings:         {config.embeddings.provider} ({config.embeddings.dimensions} dims)")
    typer.echo(f"  Similarity:         limit={config.similarity.limit} threshold={config.similarity.threshold}")
    typer.echo(f"  Recommender:        {config.recommender.provider}")
    typer.echo(f"  Report output dir:  {config.report.output_dir}")
    typer.echo(f"  Log level:          {config.logging.level}")
    typer.echo(f"  Debug mode:         {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        dumped = config.model_dump(
            exclude={"embeddings": {"api_key"}, "recommender": {"api_key"}}
        )
        typer.echo(json.dumps(dumped, indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("benchmarks")
def benchmarks(
    category: Optional[str] = typer.Option(
        None,
        "--category",
        "-c",
        help="Only show one category: sex, age, race, ethnicity.",
    ),
) -> None:
    """Print the population benchmark table."""
    from diversity_scorecard.scoring.benchmarks import BenchmarkTable
    from diversity_scorecard.taxonomy.demographics import CATEGORY_LABELS, DemographicCategory

    if category is not None:
        try:
            category = DemographicCategory(category.lower()).value
        except ValueError:
            valid = ", ".join(c.value for c in DemographicCategory)
            typer.echo(f"[ERROR] Unknown category '{category}'. Use one of: {valid}.", err=True)
            raise typer.Exit(code=1)

    table = BenchmarkTable()
    current = None
    for entry in table.entries(category):
        if entry.category != current:
            current = entry.category
            typer.echo(f"\n{CATEGORY_LABELS[DemographicCategory(current)]}")
        typer.echo(f"  {entry.code:<22} {entry.expected_percentage:>6.2f}%")


@app.command("grade")
def grade(
    input_file: Path = typer.Argument(
        ...,
        help="Scorecard submission JSON (drug, totalParticipants, demographics).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    output_dir: Optional[str] = typer.Option(
        None,
        "--output-dir",
        help="Override report output directory from config.",
    ),
    no_save: bool = typer.Option(
        False,
        "--no-save",
        help="Do not store the scorecard; print the report to stdout instead of writing it.",
    ),
) -> None:
    """Grade a submission, store it, and write its markdown report.

    Prior scorecards in the database are searched for similar trials.
    Embedding, similarity, and recommendation failures degrade gracefully;
    an unknown demographic code (strict benchmarks) fails the command.
    """
    from pydantic import ValidationError

    from diversity_scorecard.db.repositories.scorecard_repo import ScorecardRepository
    from diversity_scorecard.db.schema import apply_schema
    from diversity_scorecard.embeddings.providers import build_embedding_provider
    from diversity_scorecard.errors import ScorecardError
    from diversity_scorecard.models.scorecard import ScorecardInput
    from diversity_scorecard.recommendations.providers import build_recommender
    from diversity_scorecard.report.generator import generate_report, write_report
    from diversity_scorecard.scorecard.assembler import ScorecardAssembler
    from diversity_scorecard.taxonomy.demographics import CATEGORY_LABELS
    from diversity_scorecard.vectors.similarity import SimilarityIndex

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    if not input_file.exists():
        typer.echo(f"[ERROR] Input file not found: {input_file}", err=True)
        raise typer.Exit(code=1)

    try:
        with open(input_file, encoding="utf-8") as f:
            raw = json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        typer.echo(f"[ERROR] JSON parse error: {exc}", err=True)
        raise typer.Exit(code=1)

    try:
        submission = ScorecardInput.model_validate(raw)
    except ValidationError as exc:
        typer.echo(f"[ERROR] Submission failed validation:\n{exc}", err=True)
        raise typer.Exit(code=1)

    provider = build_embedding_provider(config.embeddings)
    recommender = build_recommender(config.recommender)
    assembler = ScorecardAssembler.from_config(config)

    try:
        with _open_db(config, db_path) as conn:
            apply_schema(conn)
            repo = ScorecardRepository(conn)
            try:
                result = assembler.assemble(
                    submission, provider, SimilarityIndex(repo), recommender
                )
            except ScorecardError as exc:
                typer.echo(f"[ERROR] Grading failed: {exc}", err=True)
                raise typer.Exit(code=1)

            markdown = generate_report(
                result, total_participants=submission.total_participants
            )
            if not no_save:
                repo.insert(
                    result,
                    markdown,
                    collection=config.similarity.collection,
                    total_participants=submission.total_participants,
                )
    finally:
        _close_quietly(provider, recommender)

    typer.echo(f"Scorecard {result.id} — {result.drug}")
    for category, data in result.demographics.by_category():
        typer.echo(f"  {CATEGORY_LABELS[category]:<12} {data.score:.2f}  {data.grade}")
    typer.echo(f"  {'Overall':<12} {result.overall_score:.2f}  {result.overall_grade}")
    typer.echo(f"  Similar scorecards: {len(result.similar_scorecards)}")
    typer.echo(f"  Recommendations:    {len(result.recommendations)}")

    if no_save:
        typer.echo("")
        typer.echo(markdown)
        return

    path = write_report(markdown, Path(output_dir or config.report.output_dir), result.id)
    typer.echo(f"  Report: {path}")
    typer.echo("[OK] Scorecard graded.")


@app.command("report")
def report(
    scorecard_id: str = typer.Argument(..., help="Scorecard id."),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the report to this file instead of stdout.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
) -> None:
    """Print (or write) the stored markdown report of a scorecard.

    Scorecards stored without a report are re-rendered from their data.
    """
    from diversity_scorecard.db.repositories.scorecard_repo import ScorecardRepository
    from diversity_scorecard.db.schema import apply_schema
    from diversity_scorecard.report.generator import generate_report

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        apply_schema(conn)
        repo = ScorecardRepository(conn)
        result = repo.get(scorecard_id)
        if result is None:
            typer.echo(f"[ERROR] Scorecard not found: {scorecard_id}", err=True)
            raise typer.Exit(code=1)
        markdown = repo.get_report(scorecard_id)
        if not markdown:
            markdown = generate_report(
                result, total_participants=repo.get_total_participants(scorecard_id)
            )

    if output is None:
        typer.echo(markdown)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(markdown, encoding="utf-8")
    typer.echo(f"[OK] Report written to {output}")


@app.command("similar")
def similar(
    scorecard_id: str = typer.Argument(..., help="Scorecard id to search from."),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        help="Maximum results (default from config).",
    ),
    threshold: Optional[float] = typer.Option(
        None,
        "--threshold",
        "-t",
        help="Minimum cosine similarity (default from config).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
) -> None:
    """List stored scorecards similar to an existing one."""
    from diversity_scorecard.db.repositories.scorecard_repo import ScorecardRepository
    from diversity_scorecard.db.schema import apply_schema
    from diversity_scorecard.errors import DimensionMismatchError, UndefinedSimilarityError
    from diversity_scorecard.vectors.similarity import SimilarityIndex

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    limit = config.similarity.limit if limit is None else limit
    threshold = config.similarity.threshold if threshold is None else threshold

    with _open_db(config, db_path) as conn:
        apply_schema(conn)
        repo = ScorecardRepository(conn)
        source = repo.get(scorecard_id)
        if source is None:
            typer.echo(f"[ERROR] Scorecard not found: {scorecard_id}", err=True)
            raise typer.Exit(code=1)
        try:
            hits = SimilarityIndex(repo).find_similar(
                config.similarity.collection,
                source.embedding,
                limit=limit,
                threshold=threshold,
                exclude_ids=[scorecard_id],
            )
        except (DimensionMismatchError, UndefinedSimilarityError) as exc:
            typer.echo(f"[ERROR] {exc}", err=True)
            raise typer.Exit(code=1)

    typer.echo(f"Scorecards similar to {scorecard_id} ({source.drug}), threshold {threshold:.2f}:")
    if not hits:
        typer.echo("  (none)")
        return
    for rank, hit in enumerate(hits, start=1):
        typer.echo(
            f"  {rank}. {hit.id}  {hit.record.get('drug', '')}  "
            f"grade {hit.record.get('overall_grade', '?')}  similarity {hit.similarity:.3f}"
        )


@app.command("history")
def history(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of scorecards to list."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
) -> None:
    """List the most recently graded scorecards."""
    from diversity_scorecard.db.repositories.scorecard_repo import ScorecardRepository
    from diversity_scorecard.db.schema import apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        apply_schema(conn)
        recent = ScorecardRepository(conn).list_recent(limit)

    if not recent:
        typer.echo("No scorecards stored yet.")
        return
    for result in recent:
        typer.echo(
            f"  {result.id}  {result.drug:<30} {result.overall_grade}  {result.overall_score:.2f}"
        )


if __name__ == "__main__":
    app()
