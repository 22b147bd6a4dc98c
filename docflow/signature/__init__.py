"""
Signature stamping.

Composites signer PNG images, labels and signing dates onto the draft PDF
of a generated document (overlay merge) and stores the final artifact.
"""
