"""Core domain package for doppel.

Core contains caching, relevance scoring, and answer orchestration without
any HTTP, SDK, or filesystem-specific code, keeping the business logic portable.
"""
