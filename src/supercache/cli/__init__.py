"""Command-line interface for supercache."""
