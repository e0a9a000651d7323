"""quizarena — timed quiz match engine."""

__version__ = "0.1.0"
