"""Adaptive MCAT study schedule generator."""
