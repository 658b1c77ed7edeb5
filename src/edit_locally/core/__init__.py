"""Core orchestration and error types for edit-locally."""
