# ABOUTME: Subcommands for the Audioshelf CLI.
# ABOUTME: One module per command; registered on the root group in audioshelf.cli.
