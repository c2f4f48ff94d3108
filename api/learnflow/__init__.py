"""LearnFlow course progress and assessment engine."""

__version__ = "0.1.0"
