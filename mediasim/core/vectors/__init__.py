"""Vector types, metrics, codecs, the similarity index, and the store facade."""
