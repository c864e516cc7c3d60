"""
Core application engine for reconstructing bundles.

This package contains the primary logic. `decoder` expands compact identifiers,
`resolver` turns a manifest into download tasks, `engine` runs those tasks with
bounded concurrency and retry, and the `BundleProcessor` wires them together
for each manifest.
"""
