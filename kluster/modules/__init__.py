"""
kluster building blocks: release cache, kubeconfig synchronisation, multipass and cloud-init.
"""
