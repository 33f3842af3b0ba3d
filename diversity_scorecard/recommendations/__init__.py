"""
Recommendation generation for graded scorecards.

Modules
-------
prompt    : build_prompt() + parse_recommendations() — advisory prompt text and
            the parser for the block format the prompt asks for.
providers : Recommender protocol + NullRecommender + RuleBasedRecommender +
            LLMRecommender + build_recommender().

Recommenders are best-effort: the assembler treats any
``RecommenderUnavailableError`` as "no recommendations".
"""
