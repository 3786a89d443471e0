# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains middleware components for authentication and
error handling in the Ijwi complaint platform.
"""
