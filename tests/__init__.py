"""Tests - FRI script verifier test suite."""
