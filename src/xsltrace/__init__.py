"""xsltrace: trace XSLT validation failures back to the producing stylesheet line."""

__version__ = "0.4.0"
