"""Allow running as ``python -m synapsis_session``."""

from .cli import main

if __name__ == "__main__":
    main()
