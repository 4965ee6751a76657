"""Allow running the engine with ``python -m declare_analytics``."""

from .main import main

if __name__ == "__main__":
    main()
