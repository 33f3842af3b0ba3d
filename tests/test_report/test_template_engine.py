"""
Tests for diversity_scorecard/report/template_engine.py.

What we test
------------
- Interpolation of dotted paths; missing values and scalar traversal render "".
- Value stringification (None, bools, integral floats, lists, dicts).
- Filters: number, date, title; wrong types render "".
- for loops (loop variables, scoping, non-list values) and if/else
  (truthiness, membership) including nesting.
- Whitespace control.
- Fail-open handling of malformed templates.
- Rendering is deterministic for the same template and context.
"""

from __future__ import annotations

import pytest

from diversity_scorecard.report.template_engine import (
    format_number,
    parse,
    render,
    resolve_path,
    to_display,
    tokenize,
)


# ── Interpolation ─────────────────────────────────────────────────────────────

class TestInterpolation:
    def test_simple_and_nested_paths(self):
        ctx = {"drug": "Examplimab", "demographics": {"sex": {"grade": "A"}}}
        assert render("{{ drug }}: {{ demographics.sex.grade }}", ctx) == "Examplimab: A"

    def test_whitespace_inside_braces_is_optional(self):
        assert render("{{drug}}", {"drug": "X"}) == "X"

    def test_missing_path_renders_empty(self):
        assert render("[{{ nope.deeper }}]", {}) == "[]"

    def test_traversal_through_scalar_renders_empty(self):
        assert render("[{{ a.b.c }}]", {"a": {"b": 5}}) == "[]"

    def test_numeric_segments_index_lists(self):
        ctx = {"items": [{"name": "first"}, {"name": "second"}]}
        assert render("{{ items.1.name }}", ctx) == "second"
        assert render("[{{ items.5.name }}]", ctx) == "[]"

    def test_none_renders_empty(self):
        assert render("[{{ x }}]", {"x": None}) == "[]"


class TestToDisplay:
    @pytest.mark.parametrize(
        "value, text",
        [
            (None, ""),
            (True, "true"),
            (False, "false"),
            (0, "0"),
            (2.0, "2"),
            (0.1, "0.1"),
            ("text", "text"),
            ([1, None, "x"], "1,,x"),
            ({"k": 1}, '{"k": 1}'),
        ],
    )
    def test_values(self, value, text):
        assert to_display(value) == text


class TestResolvePath:
    def test_never_raises(self):
        assert resolve_path({"a": "string"}, ["a", "0"]) is None
        assert resolve_path({"a": [1]}, ["a", "x"]) is None
        assert resolve_path(None, ["a"]) is None


# ── Filters ───────────────────────────────────────────────────────────────────

class TestNumberFilter:
    def test_fixed_precision(self):
        assert render("{{ pi | number('0.00') }}", {"pi": 3.14159}) == "3.14"

    def test_forced_sign_keeps_negative(self):
        assert render("{{ d | number('+0.0') }}", {"d": -1.2}) == "-1.2"

    def test_forced_sign_on_positive_and_zero(self):
        assert format_number(2.5, "+0.0") == "+2.5"
        assert format_number(0, "+0.0") == "+0.0"

    @pytest.mark.parametrize(
        "value, fmt, text",
        [
            (0.625, "0.00", "0.63"),
            (12.25, "0.0", "12.3"),
            (2.5, "0", "3"),
            (-2.5, "0", "-3"),
            (0.125, "+0.00", "+0.13"),
        ],
    )
    def test_exact_halves_round_away_from_zero(self, value, fmt, text):
        assert format_number(value, fmt) == text

    def test_exact_half_in_template(self):
        assert render("{{ s | number('0.00') }}", {"s": 0.625}) == "0.63"

    def test_negative_zero_takes_forced_sign(self):
        assert format_number(-0.0, "+0.0") == "+0.0"

    def test_no_decimal_point_means_integer(self):
        assert format_number(3.6, "0") == "4"
        assert format_number(3.6, "") == "4"

    def test_double_quoted_format(self):
        assert render('{{ x | number("0.000") }}', {"x": 1}) == "1.000"

    @pytest.mark.parametrize("value", ["3.1", None, True, [1]])
    def test_non_numbers_render_empty(self, value):
        assert render("[{{ x | number('0.0') }}]", {"x": value}) == "[]"


class TestDateFilter:
    def test_iso_datetime(self):
        ctx = {"at": "2026-10-16T09:30:00Z"}
        assert render("{{ at | date('MMMM D, YYYY') }}", ctx) == "October 16, 2026"

    def test_iso_date_with_offset(self):
        assert render("{{ at | date() }}", {"at": "2026-01-02T00:00:00+00:00"}) == "January 2, 2026"

    @pytest.mark.parametrize("value", ["not a date", 12345, None])
    def test_invalid_renders_empty(self, value):
        assert render("[{{ at | date('MMMM D, YYYY') }}]", {"at": value}) == "[]"


class TestTitleFilter:
    def test_title(self):
        assert render("{{ p | title }}", {"p": "hIGH"}) == "High"

    def test_non_string(self):
        assert render("[{{ p | title }}]", {"p": 3}) == "[]"

    def test_filters_chain(self):
        assert render("{{ p | date('x') | title }}", {"p": "2026-10-16"}) == "October 16, 2026"


class TestUnknownFilter:
    def test_unknown_filter_renders_empty(self):
        assert render("[{{ x | upper }}]", {"x": "a"}) == "[]"

    def test_expression_renders_empty(self):
        ctx = {"a": 3, "b": 1}
        assert render("[{{ (a - b) | number('+0.0') }}]", ctx) == "[]"


# ── Loops ─────────────────────────────────────────────────────────────────────

class TestForLoop:
    def test_basic(self):
        assert render("{% for x in xs %}{{ x }},{% endfor %}", {"xs": [1, 2]}) == "1,2,"

    def test_loop_variables(self):
        template = (
            "{% for x in xs %}{{ loop.index }}/{{ loop.length }}"
            "{% if loop.last %}.{% else %} {% endif %}{% endfor %}"
        )
        assert render(template, {"xs": ["a", "b", "c"]}) == "1/3 2/3 3/3."

    def test_first_and_index0(self):
        template = "{% for x in xs %}{% if loop.first %}>{% endif %}{{ loop.index0 }}{% endfor %}"
        assert render(template, {"xs": ["a", "b"]}) == ">01"

    def test_attribute_access_on_items(self):
        ctx = {"groups": [{"name": "Male", "pct": 49.0}, {"name": "Female", "pct": 51.0}]}
        template = "{% for g in groups %}{{ g.name }}={{ g.pct | number('0.0') }};{% endfor %}"
        assert render(template, ctx) == "Male=49.0;Female=51.0;"

    def test_outer_context_visible_and_restored(self):
        template = "{{ x }}{% for x in xs %}{{ x }}{{ suffix }}{% endfor %}{{ x }}"
        assert render(template, {"x": "o", "xs": [1], "suffix": "!"}) == "o1!o"

    def test_nested_loops(self):
        ctx = {"rows": [[1, 2], [3]]}
        template = "{% for row in rows %}[{% for v in row %}{{ v }}{% endfor %}]{% endfor %}"
        assert render(template, ctx) == "[12][3]"

    def test_tuple_iterates(self):
        assert render("{% for x in xs %}{{ x }}{% endfor %}", {"xs": ("a", "b")}) == "ab"

    @pytest.mark.parametrize("value", [None, "abc", 5, {"a": 1}])
    def test_non_list_renders_nothing(self, value):
        assert render("[{% for x in xs %}{{ x }}{% endfor %}]", {"xs": value}) == "[]"

    def test_missing_list_renders_nothing(self):
        assert render("[{% for x in nope %}x{% endfor %}]", {}) == "[]"


# ── Conditionals ──────────────────────────────────────────────────────────────

class TestConditional:
    def test_truthy_and_falsy(self):
        template = "{% if flag %}yes{% else %}no{% endif %}"
        assert render(template, {"flag": True}) == "yes"
        assert render(template, {"flag": 0}) == "no"
        assert render(template, {}) == "no"

    def test_empty_list_is_falsy(self):
        assert render("{% if xs %}y{% else %}n{% endif %}", {"xs": []}) == "n"

    def test_empty_mapping_is_falsy(self):
        assert render("{% if m %}y{% else %}n{% endif %}", {"m": {}}) == "n"

    def test_without_else(self):
        assert render("a{% if x %}b{% endif %}c", {"x": ""}) == "ac"

    def test_membership(self):
        template = "{% if grade in ['A', 'B'] %}strong{% else %}weak{% endif %}"
        assert render(template, {"grade": "B"}) == "strong"
        assert render(template, {"grade": "C"}) == "weak"
        assert render(template, {}) == "weak"

    def test_membership_with_number_and_double_quotes(self):
        assert render('{% if n in ["1", "2"] %}y{% endif %}', {"n": 2}) == "y"

    def test_nested_if_in_for(self):
        template = "{% for g in gs %}{% if g.ok %}+{% else %}-{% endif %}{% endfor %}"
        assert render(template, {"gs": [{"ok": True}, {"ok": False}, {}]}) == "+--"

    def test_only_chosen_branch_is_evaluated(self):
        template = "{% if x %}{{ x.name }}{% else %}none{% endif %}"
        assert render(template, {"x": None}) == "none"


# ── Whitespace control ────────────────────────────────────────────────────────

class TestWhitespaceControl:
    def test_strip_both_sides(self):
        assert render("a  {%- if t -%}  b  {%- endif %}\n", {"t": True}) == "ab\n"

    def test_markdown_table_rows(self):
        template = "| h |\n{%- for r in rows %}\n| {{ r }} |\n{%- endfor %}\nend"
        assert render(template, {"rows": [1, 2]}) == "| h |\n| 1 |\n| 2 |\nend"

    def test_output_tags(self):
        assert render("a {{- x -}} b", {"x": "X"}) == "aXb"


# ── Malformed templates ───────────────────────────────────────────────────────

class TestFailOpen:
    def test_unknown_tag_is_literal(self):
        assert render("a{% include 'x' %}b", {}) == "a{% include 'x' %}b"

    def test_unclosed_for_is_literal(self):
        assert render("a{% for x in xs %}b{{ y }}", {"xs": [1], "y": "Y"}) == "a{% for x in xs %}bY"

    def test_unclosed_if_is_literal(self):
        assert render("{% if t %}a{% else %}b", {"t": True}) == "{% if t %}a{% else %}b"

    def test_stray_end_tags_are_literal(self):
        assert render("x{% endif %}y{% endfor %}", {}) == "x{% endif %}y{% endfor %}"

    def test_unterminated_output_is_literal(self):
        assert render("Hello {{ name", {"name": "N"}) == "Hello {{ name"

    def test_unterminated_tag_is_literal(self):
        assert render("{{ a }} {% if", {"a": 1}) == "1 {% if"

    def test_if_without_condition_is_literal(self):
        assert render("{% if %}x", {}) == "{% if %}x"

    def test_empty_output_is_literal(self):
        assert render("a{{}}b", {"": "x"}) == "a{{}}b"

    def test_blank_output_renders_empty(self):
        assert render("a{{ }}b", {}) == "ab"

    def test_mismatched_inner_block_does_not_swallow_outer_end(self):
        template = "{% for x in xs %}{% if x %}A{% endfor %}"
        assert render(template, {"xs": [1, 2]}) == "{% if x %}A{% if x %}A"


# ── Determinism / structure ───────────────────────────────────────────────────

class TestDeterminism:
    def test_render_is_repeatable(self):
        template = "{% for x in xs %}{{ loop.index }}:{{ x | number('0.0') }} {% endfor %}"
        ctx = {"xs": [1.25, 2, 3.5]}
        assert render(template, ctx) == render(template, ctx)

    def test_context_not_mutated(self):
        ctx = {"xs": [1, 2]}
        render("{% for x in xs %}{{ x }}{% endfor %}", ctx)
        assert ctx == {"xs": [1, 2]}

    def test_tokenize_and_parse(self):
        tokens = tokenize("a{{ b }}{% if c %}d{% endif %}")
        assert [t.kind for t in tokens] == ["text", "output", "tag", "text", "tag"]
        assert len(parse("a{{ b }}{% if c %}d{% endif %}")) == 3
