"""testsum - Summarize, format and rerun failures of go test -json output."""

__version__ = "0.1.0"
