"""Archive GitHub Actions workflow logs to object storage.

A GitHub App webhook delivers ``workflow_run`` events. For each completed
run the service fetches the run's log archive, gzip-compresses it, and
uploads it to Azure Blob Storage under ``{owner}-{repo}``.
"""
