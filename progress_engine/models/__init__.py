"""Pydantic models for progress-engine"""
