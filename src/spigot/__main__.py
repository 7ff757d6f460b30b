"""Allow running Spigot with ``python -m spigot``."""

from spigot.main import run

if __name__ == "__main__":
    run()
