"""Bundled markdown templates for scorecard reports."""

SCORECARD_REPORT_TEMPLATE = """\
# Clinical Trial Diversity Report: {{ drug_name }}
**Report Generated:** {{ generated_at | date('MMMM D, YYYY') }}
**Scorecard ID:** `{{ scorecard_id }}`

## Executive Summary

{{ drug_name }}'s clinical trial demonstrates {{ overall_description }} diversity \
across demographic categories, achieving an overall grade of {{ overall_grade }} \
(score {{ overall_score | number('0.00') }}). \
{% if overall_grade in ['A', 'B'] %}While representation is strong in most areas\
{%- else %}There are significant opportunities for improvement{% endif %}, \
particularly in {{ weakest_category }} diversity.

## Overall Diversity Metrics

| Category | Score (0-1) | Grade | Groups Reported |
|----------|-------------|-------|-----------------|
{%- for category in categories %}
| {{ category.label }} | {{ category.score | number('0.00') }} | {{ category.grade }} | {{ category.group_count }} |
{%- endfor %}
| **Overall** | {{ overall_score | number('0.00') }} | {{ overall_grade }} | - |

## Detailed Analysis
{% for category in categories %}
### {{ category.label }} Distribution (Grade: {{ category.grade }})
{% if category.items %}
| Group | Trial % | Expected % | Difference | Individual Score | Individual Grade |
|-------|---------|------------|------------|------------------|------------------|
{%- for item in category.items %}
| {{ item.name }} | {{ item.percentage | number('0.0') }}% | {{ item.expected_percentage | number('0.0') }}% | {{ item.difference | number('+0.0') }}% | {{ item.score | number('0.00') }} | {{ item.grade }} |
{%- endfor %}
{% else %}
_No {{ category.label }} breakdown was reported._
{% endif %}
{%- endfor %}

## Statistical Analysis

### Margin of Error (95% confidence)

| Demographic Category | Sample Size | Largest Group | Margin of Error |
|---------------------|-------------|---------------|-----------------|
{%- for category in categories %}
| {{ category.label }} | {{ statistics.total_participants }} | {{ category.largest_group }} | \
{% if category.has_margin %}±{{ category.margin_of_error | number('0.00') }}%{% else %}n/a{% endif %} |
{%- endfor %}

### Disease Incidence Analysis
{% if disease_incidence %}
| Demographic Group | Disease Incidence | Trial Representation | Assessment |
|------------------|-------------------|---------------------|------------|
{%- for group in disease_incidence %}
| {{ group.demographic }} | {{ group.level }} | {{ group.representation }} | {{ group.assessment }} |
{%- endfor %}
{% else %}
No groups were reported with a disease incidence different from the general population.
{% endif %}
## Recommendations
{% if has_recommendations %}
### Priority Areas for Improvement
{%- for rec in recommendations.high %}
- 🔴 **High Priority** ({{ rec.category }}): {{ rec.message }}
{%- endfor %}
{%- for rec in recommendations.medium %}
- 🟡 **Medium Priority** ({{ rec.category }}): {{ rec.message }}
{%- endfor %}
{%- for rec in recommendations.low %}
- 🟢 **Low Priority** ({{ rec.category }}): {{ rec.message }}
{%- endfor %}

### Action Items
{%- for item in action_items %}
- {{ item }}
{%- endfor %}
{% else %}
No recommendations were generated for this scorecard.
{% endif %}
## Similar Prior Trials
{% if similar_scorecards %}
{%- for similar in similar_scorecards %}
{{ loop.index }}. `{{ similar }}`
{%- endfor %}
{% else %}
No sufficiently similar prior scorecards were found.
{% endif %}
## Methodology Notes

### Scoring
Each group is scored on the absolute gap between its trial share and the
population benchmark: within 5 points scores 1.0, then 0.8, 0.6, 0.4 and 0.2
for every further 5 points, and 0.0 beyond 25 points.  Category scores are the
mean of their group scores; the overall score weights the four categories equally.

### Grading Criteria
- **A**: score ≥ 0.90
- **B**: score ≥ 0.80
- **C**: score ≥ 0.70
- **D**: score ≥ 0.60
- **F**: score < 0.60

### Data Sources
- Population benchmarks: 2020 U.S. Census data
- Statistical significance: 95% confidence level

## References
{%- for ref in references %}
{{ loop.index }}. {{ ref }}
{%- endfor %}

---
*This report was automatically generated by the Clinical Trial Diversity Scorecard System.*
"""

REFERENCES: tuple[str, ...] = (
    "U.S. Census Bureau, 2020 Census Demographic and Housing Characteristics File.",
    "U.S. Food and Drug Administration, Diversity Plans to Improve Enrollment of "
    "Participants from Underrepresented Populations in Clinical Studies (draft guidance, 2024).",
    "National Institutes of Health, Inclusion Across the Lifespan Policy.",
)
