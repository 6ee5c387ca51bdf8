"""Core services for safecmd: paths, config loading and theming."""
