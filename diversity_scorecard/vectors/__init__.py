"""
Embedding vectors and similarity search.

Modules
-------
vector_math : dot / magnitude / cosine_similarity / normalize / add /
              subtract / l2_distance / random_unit_vector / combine_embeddings.
similarity  : VectorStore protocol + SimilarRecord + SimilarityIndex.
store       : InMemoryVectorStore — a dict-backed VectorStore.
"""
