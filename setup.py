import logging
import os
import re
import io

logger = logging.getLogger(__name__)

ROOT_DIR = os.path.dirname(__file__)

MINIMUM_SUPPORTED_PYTHON_VERSION = "3.8"


def find_version(*filepath):
    # Extract version information from filepath
    with open(os.path.join(ROOT_DIR, *filepath)) as fp:
        version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]",
                                  fp.read(), re.M)
        if version_match:
            return version_match.group(1)
        raise RuntimeError("Unable to find version string.")


class SetupSpec:
    def __init__(self, name: str, description: str):
        self.name: str = name
        self.version = find_version("bkelastic", "__init__.py")
        self.description: str = description
        self.install_requires: list = []
        self.extras: dict = {}

    def get_packages(self):
        return setuptools.find_packages(include=["bkelastic", "bkelastic.*"])


# "bkelastic" primary wheel package.
setup_spec = SetupSpec(
    "bkelastic",
    "Bootstrap of the Buildkite agent hosts of an elastic CI stack on AWS")

setup_spec.extras = {
    "test": [
        "pytest",
    ],
}

# These are the main dependencies for users of bkelastic. This list
# should be carefully curated.

setup_spec.install_requires = [
    "boto3",
    "botocore",
    "click >= 7.0",
    "filelock",
    "requests",
]


if __name__ == "__main__":
    import setuptools

    setuptools.setup(
        name=setup_spec.name,
        version=setup_spec.version,
        description=setup_spec.description,
        long_description=io.open(
            os.path.join(ROOT_DIR, "README.md"), "r", encoding="utf-8").read(),
        long_description_content_type="text/markdown",
        keywords="Buildkite Elastic CI AWS Bootstrap",
        classifiers=[
            f"Programming Language :: Python :: {MINIMUM_SUPPORTED_PYTHON_VERSION}",
        ],
        python_requires=f">={MINIMUM_SUPPORTED_PYTHON_VERSION}",
        packages=setup_spec.get_packages(),
        install_requires=setup_spec.install_requires,
        extras_require=setup_spec.extras,
        entry_points={
            "console_scripts": [
                "bkelastic=bkelastic.scripts.scripts:main",
            ]
        },
        include_package_data=True,
        zip_safe=False)
