"""Allow ``python -m lmmselect``."""

from lmmselect.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
