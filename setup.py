from pathlib import Path

from setuptools import find_packages, setup  # isort: skip


HERE = Path(__file__).resolve().parent


def get_version():
    # type: () -> str
    about = {}  # type: dict
    exec((HERE / "cloudprof" / "_version.py").read_text(), about)
    return about["__version__"]


setup(
    name="cloudprof",
    version=get_version(),
    description="Background profiling agent for the Cloud Profiler API",
    long_description=(HERE / "README.md").read_text() if (HERE / "README.md").exists() else "",
    long_description_content_type="text/markdown",
    license="Apache-2.0",
    packages=find_packages(exclude=["tests*", "benchmarks*", "scripts*"]),
    package_data={
        "cloudprof": ["py.typed"],
    },
    python_requires=">=3.8",
    zip_safe=False,
    install_requires=[
        "attrs>=20",
        "envier~=0.6",
        "humanfriendly>=10.0",
        "protobuf>=4.25",
        "psutil>=5.9",
    ],
    extras_require={
        "tests": [
            "httpretty",
            "mock",
            "pytest",
        ],
    },
    classifiers=[
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: System :: Monitoring",
    ],
)
