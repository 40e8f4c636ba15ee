"""
apm - Android SDK provisioning tool.

Downloads and installs the tools, build tools, platform framework and
auxiliary files required to build Android application packages.
"""
