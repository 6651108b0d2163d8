# ABOUTME: File format support for Audioshelf.
# ABOUTME: Audio classification and tag reading live in formats.audio.
