"""DeployHub - deployment console with live log streaming."""

__version__ = "0.1.0"
