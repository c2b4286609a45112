"""Turn a project description into a site/app model, build artifacts, deployments and store submissions."""

__version__ = "0.1.0"
