"""
PDT EPP command-line test driver.
"""
