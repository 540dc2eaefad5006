from .gemini_client import CHAT_SYSTEM_INSTRUCTION, GeminiService, decode_scene_drafts

__all__ = ["CHAT_SYSTEM_INSTRUCTION", "GeminiService", "decode_scene_drafts"]
