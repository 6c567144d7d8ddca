"""Telegram front end for the virtual closet."""
