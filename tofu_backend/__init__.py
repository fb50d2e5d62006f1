"""Bootstrap a secure OpenTofu S3 backend through CloudFormation."""
