"""Test suite for STARK."""
