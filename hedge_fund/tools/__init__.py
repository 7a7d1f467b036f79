"""
External data tools (financialdatasets.ai client).
"""
