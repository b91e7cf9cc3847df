"""Dev server launcher for the strategy engine."""


def main() -> None:
    """Run the dev server (reload on, single worker in local env)."""
    from app.main import run

    run()


if __name__ == "__main__":
    main()
