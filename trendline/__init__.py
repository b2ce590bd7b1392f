"""Sports analytics aggregation core: fan-out fetch, merge, score, synthesize and poll."""

__version__ = "0.1.0"
