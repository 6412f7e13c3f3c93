"""Detect & Inspect Synthetic Output."""
