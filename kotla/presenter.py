import logging

logger = logging.getLogger(__name__)

NOTIFY_KINDS = ("info", "success", "error")


class Presenter:
    """Callbacks the game core fires towards whatever renders it.

    The base class only logs; the Streamlit page overrides these to show
    toasts, the stats panel and the celebration.
    """

    def notify(self, kind: str, message: str) -> None:
        if kind not in NOTIFY_KINDS:
            raise ValueError(f"Unknown notification kind: {kind}")
        level = logging.WARNING if kind == "error" else logging.INFO
        logger.log(level, "[%s] %s", kind, message)

    def celebrate(self) -> None:
        logger.info("Celebrating the win")

    def show_stats(self) -> None:
        logger.info("Showing the stats summary")

    def onboard(self) -> None:
        logger.info("First visit, showing how to play")
