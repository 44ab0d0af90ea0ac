"""Container codecs: PlainJson, NDJSON, legacy gzip and CIDZ v2."""
