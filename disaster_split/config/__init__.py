"""
Configuration loading and validation for download sources and pipeline paths.

Provides strongly typed settings objects populated from environment variables
(and an optional .env file) with upfront validation.
"""
