"""Check engine: exposure classifier, in-flight lock table, dispatcher."""
