#!/usr/bin/env python3
"""
=====================================================
Voice Lead Agent - List ElevenLabs Voices
=====================================================
Print the voices available to ELEVENLABS_API_KEY, to pick a
voiceName for a business.

Usage:
    python scripts/list_voices.py
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import get_settings
from services.tts.elevenlabs_service import create_elevenlabs_tts


async def list_voices() -> int:
    tts = create_elevenlabs_tts(get_settings().model_dump())
    if tts is None:
        print("Error: ELEVENLABS_API_KEY is not set.")
        return 1

    try:
        voices = await tts.get_available_voices()
    finally:
        await tts.close()

    print(f"{'NAME':<24} {'VOICE ID':<28} CATEGORY")
    for voice in voices:
        print(f"{voice.get('name', ''):<24} {voice.get('voice_id', ''):<28} {voice.get('category', '')}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(list_voices()))
