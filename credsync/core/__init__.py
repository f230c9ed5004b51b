"""Hash transcoding, reconciliation and execution."""
