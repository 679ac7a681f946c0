"""Open the approval URL in the user's default browser.

Fire-and-forget: a failure to launch a browser is reported as a warning
and never fails the flow, since the user can still open the URL by hand.
"""

from __future__ import annotations

import webbrowser

from deviceauth.output import warning


def open_url(url: str) -> bool:
    """Ask the platform to open *url* in the default handler.

    Returns:
        ``True`` if a browser was launched, ``False`` otherwise.
    """
    try:
        opened = webbrowser.open(url)
    except (webbrowser.Error, OSError) as exc:
        warning(f"Could not open a browser: {exc}")
        return False
    if not opened:
        warning("Could not open a browser; open the URL manually.")
    return opened
