"""Resolution engine: resolvers, cache and the HTML/URL rewriter."""
