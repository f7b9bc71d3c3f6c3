import os.path
import setuptools # type: ignore

root_path = os.path.dirname(__file__)

with open(os.path.join(root_path, "README.md"), "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="stagehand",
    version="0.3.1",
    author="Nick Gerner",
    author_email="nick.gerner@gmail.com",
    description="Stagehand: a tick-driven scheduler and interpreter for branching narrative events.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/gerner/stagehand",
    packages=setuptools.find_packages(where="src"),
    package_dir={'': 'src'},

    package_data={
        'stagehand': ['py.typed'],
        'stagehand.data': ['*.toml'],
    },
    include_package_data=True,
    zip_safe=False,
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    install_requires=[
        "numpy",
        "graphviz",
        "toml",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    python_requires='>=3.11',
    entry_points={
        'console_scripts': [
            'stagehand = stagehand.sim:main',
        ],
    },
)
