"""Guest memory interfaces, network policy gate, stat wire formats, ELF load planning and start-stack layout for an aarch64 Linux guest."""

__version__ = "0.1.0"

__all__ = ["guestmem", "policy", "netgate", "statpack", "stack", "elfplan", "auxv"]