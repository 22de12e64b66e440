"""Allow running the CLI as ``python -m provenance_enforcer``."""

from provenance_enforcer.cli import main

if __name__ == "__main__":
    main()
