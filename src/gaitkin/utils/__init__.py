"""Geometry, signal processing and validation helpers"""
