from glob import glob
from pathlib import Path

from setuptools import find_packages, setup

package_name = "region_planner"

setup(
    name=package_name,
    version="0.1.0",
    packages=find_packages(exclude=["test"]),
    data_files=[
        ("share/ament_index/resource_index/packages", ["resource/" + package_name]),
        ("share/" + package_name, ["package.xml"]),
        (str(Path("share") / package_name / "launch"), glob("launch/*")),
        (str(Path("share") / package_name / "config"), glob("config/*")),
    ],
    install_requires=["setuptools", "numpy"],
    python_requires=">=3.10",
    zip_safe=True,
    maintainer="Ryan Liao",
    maintainer_email="ryanliao@umich.edu",
    description="Global planner from the robot pose to a constraint-defined goal region on a cost grid",
    license="Apache-2.0",
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "region_planner = region_planner.region_planner:main",
        ],
    },
)
