"""Branch predictors, a branch target buffer and cache prefetchers for trace-driven processor simulation."""

__version__ = "0.1.0"

__all__ = [
    "prefetch",
    "btb",
    "bimodal",
    "gshare",
    "hashed_perceptron",
    "perceptron",
    "next_line",
    "ip_stride",
    "va_ampm_lite",
    "spp",
]