"""Test suite for the grade import service."""
