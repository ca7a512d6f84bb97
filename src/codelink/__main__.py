"""Package entrypoint.

`python -m codelink` launches the UI.
"""

from codelink.ui.app import main


if __name__ == "__main__":
    main()
