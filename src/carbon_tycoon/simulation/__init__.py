"""Session orchestration and state snapshots."""
