"""Pipeline orchestration: steps, plans, executor, variants."""
