"""Kubernetes operator that keeps ACR pull secrets refreshed through workload identity."""
