"""
Authentication package for the Seedr client.

This package contains the token lifecycle manager, the ordered renewal
strategies it cascades through, and the auth state stores.
"""
