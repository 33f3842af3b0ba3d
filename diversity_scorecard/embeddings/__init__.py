"""
Text embedding providers.

The scorecard core treats embeddings as an opaque ``text -> vector``
function.  Two providers ship:

  hashed — deterministic, offline: the text's MD5 digest seeds a numpy
           generator that draws a unit vector.  No semantic meaning; useful
           for tests and for running without an embedding service.
  http   — OpenAI / Azure OpenAI compatible ``/embeddings`` endpoint via httpx.
"""
