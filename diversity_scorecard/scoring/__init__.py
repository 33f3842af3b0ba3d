"""
Demographic scoring: compares trial percentages with population benchmarks.

Modules
-------
benchmarks : BenchmarkEntry + BenchmarkTable — static population reference data.
engine     : difference_score() + grade_for_score() + score_category() +
             score_demographics() + overall_score() — pure functions, no I/O.
"""
