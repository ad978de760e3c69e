"""Post-run metrics, summaries and plots."""
