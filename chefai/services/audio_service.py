"""
Audio Container Encoder.

The speech backend returns raw linear PCM (mono, 24 kHz, 16-bit little
endian). Browsers cannot play that directly, so it is framed in a RIFF/WAVE
container and base64-encoded for transport as `data:audio/wav;base64,...`.
"""
import base64
import io
import wave

from chefai.ai.errors import EncodingError
from chefai.db.models import WAV_MIME_TYPE, AudioPayload

DEFAULT_CHANNELS = 1
DEFAULT_SAMPLE_RATE = 24000
DEFAULT_SAMPLE_WIDTH = 2  # bytes per sample

WAV_DATA_URI_PREFIX = f"data:{WAV_MIME_TYPE};base64,"


def encode_wav(
    pcm_data: bytes,
    channels: int = DEFAULT_CHANNELS,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    sample_width: int = DEFAULT_SAMPLE_WIDTH,
) -> bytes:
    """
    Wrap raw PCM samples in a WAVE container.

    Args:
        pcm_data: little-endian PCM samples, no header
        channels: channel count
        sample_rate: frames per second
        sample_width: bytes per sample (2 for 16-bit)

    Returns:
        The complete WAVE file as bytes

    Raises:
        EncodingError if the buffer cannot be framed with these parameters
    """
    frame_size = channels * sample_width
    if frame_size <= 0 or sample_rate <= 0:
        raise EncodingError("Invalid audio parameters")
    if len(pcm_data) % frame_size:
        raise EncodingError(
            f"PCM buffer of {len(pcm_data)} bytes is not a whole number of {frame_size}-byte frames"
        )

    buffer = io.BytesIO()
    try:
        with wave.open(buffer, "wb") as wav_file:
            wav_file.setnchannels(channels)
            wav_file.setsampwidth(sample_width)
            wav_file.setframerate(sample_rate)
            wav_file.writeframes(pcm_data)
    except (wave.Error, ValueError, OSError) as exc:
        raise EncodingError(f"Could not produce audio: {exc}") from exc
    return buffer.getvalue()


def pcm_to_audio_payload(
    pcm_data: bytes,
    channels: int = DEFAULT_CHANNELS,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    sample_width: int = DEFAULT_SAMPLE_WIDTH,
) -> AudioPayload:
    """Encode PCM as WAVE and return it base64-encoded."""
    wav_bytes = encode_wav(pcm_data, channels, sample_rate, sample_width)
    return AudioPayload(base64_data=base64.b64encode(wav_bytes).decode("ascii"))


def parse_audio_data_uri(uri: str) -> AudioPayload:
    """
    Read an `audioDataUri` produced by this service.

    Raises:
        ValueError for any prefix other than data:audio/wav;base64,
    """
    if not uri.startswith(WAV_DATA_URI_PREFIX):
        raise ValueError("Audio data URI must start with " + WAV_DATA_URI_PREFIX)
    return AudioPayload(base64_data=uri[len(WAV_DATA_URI_PREFIX):])
