"""crawlertrap: a small honeypot site that records crawlers ignoring robots.txt."""

__version__ = "1.0.0"
