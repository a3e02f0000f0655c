"""
Daily Devotional - Audio Mixer

Mix narrated meditation audio with background music using ffmpeg.
The music is looped under the speech, lowered by MUSIC_VOLUME_DB, and
trimmed to the speech length.
"""

import asyncio
import random
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from core.constants import MUSIC_VOLUME_DB
from core.logging import get_logger

logger = get_logger(__name__)

FFMPEG_TIMEOUT = 120


class FFmpegNotFoundError(Exception):
    """Raised when ffmpeg is not available."""
    pass


class AudioMixError(RuntimeError):
    """Raised when ffmpeg fails to produce the mixed track."""


def pick_background_music(music_dir: Path, rng: Optional[random.Random] = None) -> Optional[Path]:
    """Pick a random .mp3 from a directory (None when there is none)."""
    if not music_dir.is_dir():
        return None

    tracks = sorted(p for p in music_dir.iterdir() if p.suffix.lower() == ".mp3")
    if not tracks:
        return None

    return (rng or random.Random()).choice(tracks)


def build_mix_command(
    speech_path: Path,
    music_path: Path,
    output_path: Path,
    music_volume_db: float = MUSIC_VOLUME_DB,
) -> list[str]:
    """
    Build the ffmpeg command for speech over looped background music.

    Input 0 is the speech, input 1 the music looped forever; amix stops
    when the speech ends.
    """
    return [
        "ffmpeg", "-y",
        "-i", str(speech_path),
        "-stream_loop", "-1",
        "-i", str(music_path),
        "-filter_complex",
        f"[1]volume={music_volume_db:g}dB[bg];[0][bg]amix=inputs=2:duration=first:dropout_transition=2",
        "-ac", "2",
        "-b:a", "128k",
        str(output_path),
    ]


def mix_with_background_music_sync(
    speech: bytes,
    music_path: Path,
    music_volume_db: float = MUSIC_VOLUME_DB,
) -> bytes:
    """
    Mix speech bytes with a music file and return the mixed MP3 bytes.

    Raises:
        FFmpegNotFoundError: If ffmpeg is not installed
        AudioMixError: If ffmpeg fails or times out
    """
    with tempfile.TemporaryDirectory(prefix="devotional-mix-") as tmp:
        speech_path = Path(tmp) / "speech.mp3"
        output_path = Path(tmp) / "mixed.mp3"
        speech_path.write_bytes(speech)

        cmd = build_mix_command(speech_path, music_path, output_path, music_volume_db)
        logger.debug(f"Command: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=FFMPEG_TIMEOUT,
            )
        except FileNotFoundError:
            raise FFmpegNotFoundError("ffmpeg not found. Please install ffmpeg and add it to PATH.")
        except subprocess.TimeoutExpired:
            raise AudioMixError("ffmpeg timed out while mixing background music")

        if result.returncode != 0:
            raise AudioMixError(f"ffmpeg mix failed: {result.stderr[-500:]}")

        return output_path.read_bytes()


async def mix_with_background_music(
    speech: bytes,
    music_dir: Optional[Path],
    music_volume_db: float = MUSIC_VOLUME_DB,
    rng: Optional[random.Random] = None,
) -> bytes:
    """
    Lay speech over a random background track from music_dir.

    Returns the speech unchanged when no music directory or track is
    available.
    """
    if music_dir is None:
        return speech

    music_path = pick_background_music(Path(music_dir), rng)
    if music_path is None:
        logger.warning(f"No background music found in {music_dir}, using speech only")
        return speech

    logger.info(f"Mixing meditation audio with {music_path.name}")
    return await asyncio.to_thread(
        mix_with_background_music_sync, speech, music_path, music_volume_db
    )
