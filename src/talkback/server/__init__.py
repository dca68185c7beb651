"""Tutor backend: chat round trip and realtime credential issuance."""
