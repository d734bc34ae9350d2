"""Weighted-voting ensembles, bagging, i-voting and AdaBoost learners, out-of-bag stopping."""
