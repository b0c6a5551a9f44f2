"""Launchpad - Interactive project provisioning for the starter template.

Launchpad configures a freshly cloned multi-module template for first use:
it inspects the host, negotiates the runtime version, lets the operator pick
which optional modules to keep, provisions a datastore, prunes what was not
selected and writes the environment file the application reads at startup.

Core principles:
- Check, don't remember: every run re-derives state from the filesystem
- Idempotent steps: re-running after a partial failure is always safe
- Degrade, don't die: provisioning failures become warnings and placeholders
- Operator in control: failures offer retry, continue or abort
"""

__version__ = "0.1.0"
__author__ = "Launchpad Contributors"
