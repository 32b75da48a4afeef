"""Document-to-form extraction service.

Runs uploaded documents through configured OCR and language-model
providers, merges their outputs into one field set, and maps that
field set onto user-defined form templates.
"""
