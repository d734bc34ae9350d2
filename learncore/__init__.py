"""
learncore

Anytime iterative minimizers (line searches, quasi-Newton, Powell,
conjugate gradient, nonlinear least squares) and bagging-style ensemble
learners with out-of-bag early stopping.
"""

__version__ = "0.1.0"
