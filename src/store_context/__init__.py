"""
store-context: Trust-building store descriptions for shoppers.

Asks a language-model API for a short factual paragraph about a store,
falling back to a web-search-augmented call when the model does not
know the store.
"""

__version__ = "0.1.0"
