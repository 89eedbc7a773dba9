"""Retainer: data retention plugin configuration service."""
