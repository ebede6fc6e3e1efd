"""LearnLink backend: learning plans with per-user progress tracking."""
