"""Command-line front end for FlashMind."""
