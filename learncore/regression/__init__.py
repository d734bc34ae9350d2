"""Nonlinear least-squares parameter estimation."""
