"""Moderation gate between live-stream chat events and text-to-speech."""
