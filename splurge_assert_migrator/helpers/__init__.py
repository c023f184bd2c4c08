"""Helper utilities shared by the pipeline steps and the orchestrator."""
