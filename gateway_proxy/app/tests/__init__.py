"""Tests for the gateway proxy application."""
