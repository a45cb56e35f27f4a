class ArticlePdfError(RuntimeError):
    """Base class for failures of the print-article-as-PDF action."""


class InitializationError(ArticlePdfError):
    """
    The render configuration could not be derived (no request base URL).
    Fatal for the current render attempt; the configuration stays
    uninitialized so a later call can still succeed.
    """


class RenderError(ArticlePdfError):
    """The PDF renderer failed. The original exception is chained."""
