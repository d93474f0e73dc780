"""
Thinking status display for quant-optik.

Shows a spinner with rotating optics-themed words and an elapsed time counter
while an AI or arXiv request is in flight.

Usage:
    with ThinkingStatus(console, "answering") as status:
        status.start_async_refresh()
        lines = await dispatcher.dispatch(line)
"""

import math
import random
import time
from typing import List

from rich.live import Live
from rich.text import Text

# ---------------------------------------------------------------------------
# Spinner animations
# ---------------------------------------------------------------------------

_WAVE = "⠁⠂⠄⡀⢀⠠⠐⠈"
WAVE_FRAMES: List[str] = [_WAVE[i:] + _WAVE[:i] for i in range(len(_WAVE))]

SPINNERS = {
    "photon_pulse": {
        "frames": ["·", "∙", "•", "●", "•", "∙"],
        "interval_ms": 125,
    },
    "wave_packet": {
        "frames": WAVE_FRAMES,
        "interval_ms": 100,
    },
}

THEME_COLORS = {
    "green": "#00FF00",
    "amber": "#FFBF00",
    "blue": "#00BFFF",
}


def apply_pulse(text: str, color: str = "#00FF00", elapsed_s: float = 0.0) -> Text:
    """Fade ``text`` between ``color`` and half its brightness."""
    if not text:
        return Text("")
    r, g, b = (int(color[i:i + 2], 16) for i in (1, 3, 5))
    t = (math.sin(elapsed_s * 2 * math.pi / 1.5) + 1) / 4 + 0.5
    hex_color = f"#{int(r * t):02x}{int(g * t):02x}{int(b * t):02x}"
    return Text(text, style=hex_color)


THINKING_WORDS = {
    "answering": [
        "Collapsing wavefunctions", "Squeezing the vacuum", "Counting photons",
        "Aligning the interferometer", "Pumping the cavity", "Normal-ordering operators",
        "Expanding in Fock states", "Tracing out the bath", "Rotating the frame",
        "Computing g²(τ)", "Sampling the Wigner function", "Locking the laser",
    ],
    "searching": [
        "Querying arXiv", "Skimming abstracts", "Scanning the preprint feed",
        "Collecting titles", "Checking quant-ph", "Reading the listings",
    ],
}

# Commands whose handlers wait on the network
THINKING_PHASES = {
    "ask": "answering",
    "explain": "answering",
    "quiz": "answering",
    "derive": "answering",
    "papers": "searching",
}


class _ThinkingRenderable:
    """Self-updating renderable: spinner + rotating word + elapsed time.

    Computes display state from wall-clock time on each refresh, so no
    separate update thread is needed.
    """

    def __init__(self, words, spinner_style="photon_pulse", color="#00FF00"):
        self.words = words
        self.color = color
        self.start_time = time.time()

        spinner_conf = SPINNERS.get(spinner_style, SPINNERS["photon_pulse"])
        self.frames = spinner_conf["frames"]
        self.interval_ms = spinner_conf["interval_ms"]

    def __rich_console__(self, console, options):
        elapsed = time.time() - self.start_time

        # Word rotates every 3 seconds
        word = self.words[int(elapsed / 3) % len(self.words)]
        frame_str = self.frames[int(elapsed * (1000 / self.interval_ms)) % len(self.frames)]

        if elapsed < 60:
            time_str = f"{elapsed:.0f}s"
        else:
            mins = int(elapsed // 60)
            secs = int(elapsed % 60)
            time_str = f"{mins}m {secs}s"

        output = apply_pulse(frame_str, self.color, elapsed_s=elapsed)
        output.append("  ")
        output.append(f"{word}…", style=self.color)
        output.append("  ")
        output.append(f"({time_str})", style="dim")

        yield output


class ThinkingStatus:
    """Context manager showing a transient thinking line.

    The status disappears when the context exits.

    Args:
        console: Rich Console instance.
        phase: One of the keys in THINKING_WORDS.
        spinner_style: One of the keys in SPINNERS.
        theme: Terminal theme name; picks the accent color.
    """

    def __init__(self, console, phase="answering", spinner_style="photon_pulse", theme="green"):
        self.console = console
        words = list(THINKING_WORDS.get(phase, THINKING_WORDS["answering"]))
        random.shuffle(words)
        self._renderable = _ThinkingRenderable(
            words, spinner_style=spinner_style, color=THEME_COLORS.get(theme, THEME_COLORS["green"]),
        )
        self._live = None
        self._async_task = None

    def __enter__(self):
        self._live = Live(
            self._renderable,
            console=self.console,
            refresh_per_second=8,
            transient=True,
        )
        self._live.__enter__()
        return self

    def __exit__(self, *args):
        self._cancel_async_task()
        if self._live is not None:
            live, self._live = self._live, None
            return live.__exit__(*args)

    def kick(self):
        """Force a single refresh of the Live display."""
        if self._live is not None:
            self._live.refresh()

    def start_async_refresh(self):
        """Start a background asyncio task that refreshes the display.

        Keeps the timer moving while the event loop waits on network I/O.
        """
        import asyncio

        async def _refresh_loop():
            try:
                while True:
                    await asyncio.sleep(0.125)
                    self.kick()
            except asyncio.CancelledError:
                pass

        try:
            loop = asyncio.get_running_loop()
            self._async_task = loop.create_task(_refresh_loop())
        except RuntimeError:
            pass  # No running event loop; Live's own refresh thread still runs

    def _cancel_async_task(self):
        if self._async_task is not None:
            self._async_task.cancel()
            self._async_task = None
