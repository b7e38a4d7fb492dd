"""
Setup configuration for the EC2 Spot Fleet CDK Python application.

This package provides a reusable CDK construct that provisions an EC2 Spot
Fleet together with its launch template, IAM roles and security group, plus
a small application that deploys it from CDK context.
"""

import setuptools


long_description = """
# EC2 Spot Fleet for the AWS CDK

A CDK Python construct that provisions an EC2 Spot Fleet backed by a launch
template. Linux instances started from the default Amazon Linux 2 image are
bootstrapped with the SSM agent and Docker; extra shell commands can be
appended to the bootstrap script.

## Usage

```bash
# Install dependencies
pip install -e ".[dev]"

# Deploy the stack
cdk deploy -c target_capacity=2 -c allowed_ports=80,443

# Destroy the stack
cdk destroy
```
"""


setuptools.setup(
    name="cdk-spot-fleet",
    version="1.0.0",

    author="AWS CDK Team",
    author_email="aws-cdk-team@amazon.com",

    description="CDK construct for EC2 Spot Fleets with launch templates and bootstrap scripts",
    long_description=long_description,
    long_description_content_type="text/markdown",

    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    py_modules=["app"],

    install_requires=[
        "aws-cdk-lib>=2.164.1,<3.0.0",
        "constructs>=10.0.0,<11.0.0",
        "cdk-nag>=2.27.0,<3.0.0",
    ],

    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },

    python_requires=">=3.8",

    entry_points={
        "console_scripts": [
            "spot-fleet-app=app:main",
        ],
    },

    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Code Generators",
        "Topic :: System :: Systems Administration",
    ],

    keywords=[
        "aws",
        "cdk",
        "ec2",
        "spot-fleet",
        "spot-instances",
        "launch-template",
        "infrastructure-as-code",
    ],

    license="Apache-2.0",
    zip_safe=False,
)
