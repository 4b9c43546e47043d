from setuptools import setup, find_packages

setup(
    name="RabbitForage",
    version="0.1",
    package_dir={"": "src"},
    packages=find_packages("src"),
    description="Multi-agent rabbit foraging environment for Ray RLlib: hop, eat, metabolize and survive in a continuous 3D arena.",
    author="P. van Doesburg",
    author_email="petervandoesburg11@gmail.com",
    url="https://github.com/doesburg11/predpreygrass",
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "gymnasium",
        "ray[rllib]",
        "torch",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
