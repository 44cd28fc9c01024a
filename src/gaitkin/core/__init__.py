"""Landmark types, frame buffer and recording loaders"""
