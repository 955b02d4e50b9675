"""Main entry point for quiz-agent CLI."""

from toefl_quiz.cli.app import app


def main():
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    main()
