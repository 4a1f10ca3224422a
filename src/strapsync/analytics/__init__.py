"""Batch analytics over stored strap samples.

Modules:
    activity  -- Activity classification from the raw activity code
    periods   -- Segmentation of samples into activity periods
    features  -- HRV (RMSSD) helpers
    sleep     -- Sleep cycle aggregate and score
    stress    -- Windowed stress index
    summary   -- Sleep and exercise statistics
"""
