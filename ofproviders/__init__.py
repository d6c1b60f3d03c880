"""Feature-flag providers for a GO Feature Flag relay proxy, Harness, LaunchDarkly and Unleash, sharing one evaluation model."""

__version__ = "0.1.0"