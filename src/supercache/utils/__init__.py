"""Utility modules for supercache."""
