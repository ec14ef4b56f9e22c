"""Allow ``python -m trace_testgen``."""

from trace_testgen.cli import main

if __name__ == "__main__":
    main()
