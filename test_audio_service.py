"""
Tests for the audio container encoder: WAVE header fields, data chunk length,
rejection of unframeable buffers and the transport data URI.
Run this file directly to execute tests without pytest.
"""
import base64
import io
import struct
import sys
import wave

import pytest

from chefai.ai.errors import EncodingError
from chefai.ai.media import decode_data_uri, split_data_uri
from chefai.services.audio_service import (
    WAV_DATA_URI_PREFIX,
    encode_wav,
    parse_audio_data_uri,
    pcm_to_audio_payload,
)


def _pcm(samples: int) -> bytes:
    return b"".join(struct.pack("<h", (i * 37) % 2000 - 1000) for i in range(samples))


def test_header_declares_format():
    print("\n=== TEST: WAVE header declares 24 kHz, 16-bit, mono ===")
    pcm = _pcm(480)
    wav_bytes = encode_wav(pcm)

    assert wav_bytes[:4] == b"RIFF"
    assert wav_bytes[8:12] == b"WAVE"
    assert wav_bytes[12:16] == b"fmt "
    channels, sample_rate = struct.unpack("<HI", wav_bytes[22:28])
    bits_per_sample = struct.unpack("<H", wav_bytes[34:36])[0]
    print(f"channels={channels} rate={sample_rate} bits={bits_per_sample}")
    assert (channels, sample_rate, bits_per_sample) == (1, 24000, 16)

    assert wav_bytes[36:40] == b"data"
    assert struct.unpack("<I", wav_bytes[40:44])[0] == len(pcm)
    assert len(wav_bytes) == 44 + len(pcm)
    print("✓ Header test passed")


def test_decoding_returns_original_samples():
    print("\n=== TEST: Reading the WAVE back yields the same PCM ===")
    pcm = _pcm(1000)
    with wave.open(io.BytesIO(encode_wav(pcm)), "rb") as wav_file:
        assert wav_file.getnchannels() == 1
        assert wav_file.getsampwidth() == 2
        assert wav_file.getframerate() == 24000
        assert wav_file.getnframes() == 1000
        assert wav_file.readframes(wav_file.getnframes()) == pcm
    print("✓ Read-back test passed")


def test_custom_parameters():
    print("\n=== TEST: Stereo 44.1 kHz parameters are honoured ===")
    pcm = _pcm(400)
    with wave.open(io.BytesIO(encode_wav(pcm, channels=2, sample_rate=44100)), "rb") as wav_file:
        assert wav_file.getnchannels() == 2
        assert wav_file.getframerate() == 44100
        assert wav_file.getnframes() == 200
    print("✓ Custom parameters test passed")


def test_empty_pcm_is_a_valid_file():
    print("\n=== TEST: Zero samples still produce a header ===")
    wav_bytes = encode_wav(b"")
    assert len(wav_bytes) == 44
    assert struct.unpack("<I", wav_bytes[40:44])[0] == 0
    print("✓ Empty PCM test passed")


@pytest.mark.parametrize("length", [1, 3, 481])
def test_odd_length_buffer_fails(length):
    print(f"\n=== TEST: {length}-byte buffer cannot be framed ===")
    with pytest.raises(EncodingError):
        encode_wav(b"\x00" * length)
    print("✓ Odd buffer rejected")


def test_invalid_parameters_fail():
    print("\n=== TEST: Invalid channel count or rate fails ===")
    with pytest.raises(EncodingError):
        encode_wav(_pcm(10), channels=0)
    with pytest.raises(EncodingError):
        encode_wav(_pcm(10), sample_rate=0)
    print("✓ Invalid parameters rejected")


def test_payload_and_data_uri():
    print("\n=== TEST: Payload is base64 WAVE behind data:audio/wav;base64, ===")
    pcm = _pcm(240)
    payload = pcm_to_audio_payload(pcm)

    assert payload.mime_type == "audio/wav"
    assert base64.b64decode(payload.base64_data) == encode_wav(pcm)
    assert payload.data_uri.startswith(WAV_DATA_URI_PREFIX)
    assert payload.model_dump(by_alias=True) == {"mimeType": "audio/wav", "base64Data": payload.base64_data}

    content_type, _ = split_data_uri(payload.data_uri)
    assert content_type == "audio/wav"
    assert decode_data_uri(payload.data_uri)[:4] == b"RIFF"

    assert parse_audio_data_uri(payload.data_uri) == payload
    with pytest.raises(ValueError):
        parse_audio_data_uri("data:audio/mpeg;base64," + payload.base64_data)
    print("✓ Payload test passed")


def test_malformed_data_uris():
    print("\n=== TEST: Non-base64 or malformed data URIs are rejected ===")
    for uri in ("audio/wav;base64,AAAA", "data:audio/wav,AAAA", "data:audio/wav;base64,@@@"):
        with pytest.raises(ValueError):
            decode_data_uri(uri)
    print("✓ Malformed data URI test passed")


if __name__ == "__main__":
    try:
        test_header_declares_format()
        test_decoding_returns_original_samples()
        test_custom_parameters()
        test_empty_pcm_is_a_valid_file()
        for value in (1, 3, 481):
            test_odd_length_buffer_fails(value)
        test_invalid_parameters_fail()
        test_payload_and_data_uri()
        test_malformed_data_uris()
    except AssertionError as e:
        print(f"✗ TEST FAILED: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
    print("\nAll audio encoder tests passed.")
