"""
TestGenius - AI-assisted unit test generation for GitHub repositories.

Lists source files, proposes test cases, generates test code for a chosen
case and opens a pull request with the result.
"""

__version__ = "0.1.0"
