import os

from ament_index_python.packages import get_package_share_directory
from launch import LaunchDescription
from launch_ros.actions import Node


def generate_launch_description():
    params = os.path.join(get_package_share_directory('blob_seeker'), 'config', 'blob_seeker.yaml')

    return LaunchDescription([
        # выделение цветных блобов (замена cmvision)
        Node(
            package='blob_seeker',
            executable='blob_detector',
            name='blob_detector',
            parameters=[params],
            output='screen'
        ),

        # поиск цели и объезд препятствий
        Node(
            package='blob_seeker',
            executable='goal_seeker',
            name='goal_seeker',
            parameters=[params],
            remappings=[('/cmd_vel', '/cmd_vel_mux/input/teleop')],
            output='screen'
        ),
    ])
