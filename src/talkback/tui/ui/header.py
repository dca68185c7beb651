from textual.widgets import Header, Static


def format_time(seconds: int) -> str:
    """Format elapsed seconds as MM:SS."""
    mins, secs = divmod(max(int(seconds), 0), 60)
    return f"{mins:02d}:{secs:02d}"


class TalkbackHeader(Header):
    DEFAULT_CSS = """
    TalkbackHeader {
        dock: top;
        height: 1;
        content-align: center middle;
    }
    """
    def __init__(self):
        super().__init__(show_clock=True)


class SessionTimer(Static):
    DEFAULT_CSS = """
    SessionTimer {
        height: 1;
        margin: 0 1;
        content-align: right middle;
    }
    """

    def __init__(self):
        super().__init__(format_time(0))
        self._elapsed = 0

    def tick(self) -> None:
        self._elapsed += 1
        self.update(format_time(self._elapsed))

    def reset(self) -> None:
        self._elapsed = 0
        self.update(format_time(0))
