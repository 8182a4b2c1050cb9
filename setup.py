from setuptools import setup, find_packages

with open("README.md", "r") as fh:
    long_description = fh.read()

with open("VERSION", "r") as ver:
    version_info = ver.read().strip()

setup(
    name="gcr-auth",
    version=version_info,
    description='Docker credentials for Google Container Registry from the GCE instance metadata service.',
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=["docker>=4.4.1", "pyyaml", "requests", "urllib3"],
    extras_require={"test": ["pytest", "pytest-mock"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: Unix",
    ],
    entry_points={"console_scripts": ["docker-credential-gcrauth=gcrauth.main:main"], },
    python_requires=">=3.6",
)
