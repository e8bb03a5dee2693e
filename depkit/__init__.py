"""
DepKit - build-time dependency provisioning with a cross-build cache.

DepKit validates the Node.js runtime, installs the packages declared in
package.json, and keeps dependency directories in a cache root that is
reused as long as the dependency fingerprint does not change.
"""

__version__ = "0.1.0"
