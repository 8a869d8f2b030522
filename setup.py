from setuptools import setup, find_packages

package_name = 'leap_arm_control'

setup(
    name=package_name,
    version='1.0.0',
    packages=find_packages(exclude=['tests']),
    python_requires='>=3.8',
    install_requires=[
        'numpy>=1.24',
        'websockets>=12.0',
        'paho-mqtt>=2.0',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    zip_safe=True,
    maintainer='Leap Arm Control developers',
    maintainer_email='leap-arm-control@users.noreply.github.com',
    description='Leap Motion hand tracking control for a 4-DOF servo robot arm',
    license='MIT',
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [
            'leap-arm-control = leap_arm_control.main:main',
            'leap-arm-set-position = leap_arm_control.set_position:main',
        ],
    },
)
