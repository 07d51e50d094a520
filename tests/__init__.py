"""Test suite for the localbiz pipeline."""
