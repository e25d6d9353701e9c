"""CLI command implementations (``run_*`` functions return exit codes)."""
