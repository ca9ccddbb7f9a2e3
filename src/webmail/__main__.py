"""Entry point for `python -m webmail` and `webmail` CLI."""

from webmail.cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
