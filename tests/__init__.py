"""Tests for plan-storage."""
