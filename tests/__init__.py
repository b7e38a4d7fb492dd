"""
Unit tests package for the EC2 Spot Fleet CDK application.
"""
