"""Fund return tracker: blended portfolio returns over live and intraday quotes."""

__version__ = "1.0.0"
