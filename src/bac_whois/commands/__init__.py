"""Subcommands of the bac-whois CLI."""
