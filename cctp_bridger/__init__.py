"""CCTP burn-and-mint USDC bridge orchestration and planning."""

from importlib import metadata

DISTRIBUTION = "cctp-bridger"


def __getattr__(name: str) -> str:
    if name != "__version__":
        raise AttributeError(name)
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "0.0.0"


__all__ = ["__version__"]
