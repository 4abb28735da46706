"""
Command-line entry points.

Provides command-line interfaces for:
- Running a parameter sweep (cli.sweep)
- Showing sweepable parameters (cli.params)
"""
