"""Package entry point for ``python -m yt_cleaner``.

WHY: Lets the server and the fetch command run without installing the
console script.

HOW: Delegates to cli.main().
"""

from yt_cleaner.cli import main

if __name__ == "__main__":
    main()
