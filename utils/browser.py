import webbrowser

from utils.logger import log_warning


def open_in_browser(url: str) -> bool:
    """Open url in the default browser; returns False when none is available."""
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        log_warning(f"Could not open a browser: {e}")
        return False

    if not opened:
        log_warning("No browser available. Open the URL above manually.")
    return bool(opened)
