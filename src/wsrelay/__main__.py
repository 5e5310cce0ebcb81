"""Allow `python -m wsrelay serve`."""

from wsrelay.cli.main import main

if __name__ == "__main__":
    main()
