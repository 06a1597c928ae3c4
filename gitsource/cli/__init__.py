"""gitsource command line interface"""
