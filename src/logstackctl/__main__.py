"""Allow running as ``python -m logstackctl``."""

from logstackctl.cli import main

main()
