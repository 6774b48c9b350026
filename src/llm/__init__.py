"""LLM client and graph enhancer."""
