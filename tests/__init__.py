"""
sysadmin test suite

- Unit tests for parameters, platforms, resources and providers
- Plan tests for the shared account and its members
- CLI tests driving the commands that do not need Pulumi
"""
