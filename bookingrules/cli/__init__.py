"""
Command line interface built with Typer and Rich.
"""
