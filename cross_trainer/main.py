from cross_trainer.app import AppSettings, run_server

__all__ = ["main"]


def main() -> None:
    """Entry point for the application."""
    settings = AppSettings.from_env()
    run_server(settings)


if __name__ == "__main__":
    main()
