"""flowscout: discovery, self-healing locators and flow execution for web apps."""

__version__ = "0.1.0"
