"""Technical sheet document: building, rehydration, edits and metrics.

Functions here are pure transformations over lists of ``TableSection``;
persistence lives in ``h2osheet.storage``.
"""
