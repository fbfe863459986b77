"""Tests for the Blink Cameras integration."""
