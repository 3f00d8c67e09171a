"""Tegra boot partitions: version blocks, update ordering, partition and BCT writes, boot ROM definitions."""

__version__ = "0.1.0"