"""
Sales target validation app.
Checks uploaded sales-target PDFs against an expected record.
"""
