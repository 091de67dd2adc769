"""
Deployment verification and post-deployment configuration of the Synapse PoC environment.
"""
