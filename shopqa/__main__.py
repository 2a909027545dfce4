"""Allow ``python -m shopqa``."""

from shopqa.cli import main

if __name__ == "__main__":
    main()
