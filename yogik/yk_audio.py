"""
Prompt sinks: where spoken prompts and tones end up.

- SpeechPromptSink: text-to-speech via `espeak-ng` and tones via `mpg123`,
  queued on a worker thread so callers never block
- RecordingPromptSink: keeps everything in memory (dry runs, previews, tests)

Requires `espeak-ng` and `mpg123` on the host for real audio
(sudo apt-get install espeak-ng mpg123). Missing binaries are logged, never raised.
"""

import logging
import queue
import subprocess
import threading
from collections import deque
from pathlib import Path
from typing import List, Optional, Tuple

from yogik.yk_config import AUDIO_DIR, PLAYER_BIN, SPEECH_BIN

logger = logging.getLogger(__name__)

# espeak-ng words per minute for the 0..1 rate scale (0.5 -> 175 wpm)
MIN_WPM = 80
WPM_SPAN = 190


def rate_to_wpm(rate: float) -> int:
    rate = max(0.0, min(1.0, rate))
    return int(round(MIN_WPM + rate * WPM_SPAN))


class PromptSink:
    """Interface used by practice sessions."""

    def speak(self, text: str, voice_id: str = "", rate: float = 0.5) -> None:
        raise NotImplementedError

    def play(self, tone: str) -> None:
        raise NotImplementedError

    def stop_all(self) -> None:
        raise NotImplementedError


class SpeechPromptSink(PromptSink):
    """Fire-and-forget speech and tone playback on a background worker."""

    def __init__(self, audio_dir: str = AUDIO_DIR, speech_bin: str = SPEECH_BIN,
                 player_bin: str = PLAYER_BIN, volume_percent: int = 80):
        self.audio_dir = Path(audio_dir)
        self.speech_bin = speech_bin
        self.player_bin = player_bin
        self.volume_percent = volume_percent
        self._queue: "queue.Queue[Optional[Tuple]]" = queue.Queue()
        self._process_lock = threading.Lock()
        self._current_process: Optional[subprocess.Popen] = None
        # Bumped by stop_all; prompts queued under an older value are dropped
        self._generation = 0
        self._missing_binaries = set()
        self._worker = threading.Thread(target=self._run, name="prompt-sink", daemon=True)
        self._worker.start()
        logger.info(f"SpeechPromptSink initialized - speech: {speech_bin}, player: {player_bin}")

    # ---------------- PromptSink ----------------

    def speak(self, text: str, voice_id: str = "", rate: float = 0.5) -> None:
        if not text:
            return
        self._queue.put((self._generation, "speak", text, voice_id, rate))

    def play(self, tone: str) -> None:
        if not tone:
            return
        self._queue.put((self._generation, "tone", tone))

    def stop_all(self) -> None:
        """Drop queued prompts and cut off whatever is playing now."""
        with self._process_lock:
            self._generation += 1
            process = self._current_process

        try:
            while True:
                self._queue.get_nowait()
        except queue.Empty:
            pass

        if process is not None and process.poll() is None:
            try:
                process.terminate()
                process.wait(timeout=1)
                logger.debug("Stopped prompt playback")
            except Exception as e:
                logger.error(f"Error stopping prompt playback: {e}")

    def shutdown(self) -> None:
        self.stop_all()
        self._queue.put(None)

    # ---------------- Worker ----------------

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                return
            generation, kind = item[0], item[1]
            if kind == "speak":
                _, _, text, voice_id, rate = item
                self._run_command(self._speech_command(text, voice_id, rate), generation)
            else:
                path = self._tone_path(item[2])
                if path is None:
                    logger.warning(f"Tone file not found: {item[2]}")
                    continue
                self._run_command(self._player_command(path), generation)

    def _speech_command(self, text: str, voice_id: str, rate: float) -> List[str]:
        cmd = [self.speech_bin, "-s", str(rate_to_wpm(rate))]
        if voice_id:
            cmd += ["-v", voice_id]
        cmd.append(text)
        return cmd

    def _player_command(self, path: Path) -> List[str]:
        # mpg123 -f scales output, 0-100% mapped onto 0-32768
        scale = int(32768 * (max(0, min(100, self.volume_percent)) / 100.0))
        return [self.player_bin, "-q", "-f", str(scale), str(path)]

    def _tone_path(self, tone: str) -> Optional[Path]:
        """Look for <audio_dir>/<tone>.mp3, then .wav, then the name as given."""
        for candidate in (f"{tone}.mp3", f"{tone}.wav", tone):
            path = self.audio_dir / candidate
            if path.is_file():
                return path
        return None

    def _run_command(self, cmd: List[str], generation: Optional[int] = None) -> None:
        binary = cmd[0]
        if binary in self._missing_binaries:
            return
        with self._process_lock:
            # stop_all ran after this prompt was queued
            if generation is not None and generation != self._generation:
                logger.debug(f"Dropped stale prompt: {' '.join(cmd[1:])}")
                return
            try:
                process = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
            except FileNotFoundError:
                self._missing_binaries.add(binary)
                logger.error(f"{binary} not installed, prompts using it are disabled")
                return
            except Exception as e:
                logger.error(f"Error starting {binary}: {e}")
                return
            self._current_process = process
        try:
            process.wait(timeout=30)
        except subprocess.TimeoutExpired:
            logger.error(f"Prompt playback timeout: {' '.join(cmd[1:])}")
            process.kill()
        finally:
            with self._process_lock:
                self._current_process = None


class RecordingPromptSink(PromptSink):
    """Collects prompts in memory. ``echo`` also logs each one."""

    def __init__(self, echo: bool = False, max_calls: Optional[int] = None):
        self.echo = echo
        self.calls: deque = deque(maxlen=max_calls)
        self._lock = threading.Lock()

    def speak(self, text: str, voice_id: str = "", rate: float = 0.5) -> None:
        with self._lock:
            self.calls.append(("speak", text, voice_id, rate))
        if self.echo:
            logger.info(f"[speak] {text} (rate {rate})")

    def play(self, tone: str) -> None:
        with self._lock:
            self.calls.append(("play", tone))
        if self.echo:
            logger.info(f"[tone] {tone}")

    def stop_all(self) -> None:
        with self._lock:
            self.calls.append(("stop_all",))

    @property
    def spoken(self) -> List[str]:
        with self._lock:
            return [c[1] for c in self.calls if c[0] == "speak"]

    @property
    def tones(self) -> List[str]:
        with self._lock:
            return [c[1] for c in self.calls if c[0] == "play"]

    def clear(self) -> None:
        with self._lock:
            self.calls.clear()
