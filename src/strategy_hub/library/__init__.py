"""Strategy library: models, lifecycle transitions, ranking and persistence."""
