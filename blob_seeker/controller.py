import time
from dataclasses import asdict

import rclpy
from rclpy.node import Node
from rclpy.callback_groups import MutuallyExclusiveCallbackGroup, ReentrantCallbackGroup
from rclpy.executors import MultiThreadedExecutor
from cv_bridge import CvBridge
from geometry_msgs.msg import Twist
from sensor_msgs.msg import Image
from std_msgs.msg import Bool, Float32MultiArray, String

from .arbiter import BehaviorArbiter, ControllerState
from .config import ConfigError, SeekerConfig
from .motion import ManeuverRunner, MotionPrimitives
from .perception import (
    BlobCentroidEstimator, BumperMonitor, MalformedFrame, ObstacleFieldSampler,
    PerceptionMailbox, SensorWatchdog,
)
from .wire import blob_frame_from_msg, bumper_event_from_flag, depth_from_image


class GoalSeekerController(Node):
    """Узел поиска цели по цвету с объездом препятствий.

    Сенсорные колбэки обновляют общий снимок восприятия, таймер 10 Гц
    читает его копию и прогоняет автомат поведения. Колбэки и таймер живут в
    разных группах, поэтому блокирующий манёвр не останавливает сенсоры.
    """

    def __init__(self):
        super().__init__('goal_seeker')

        # Параметры контроллера: значения по умолчанию берутся из SeekerConfig
        for name, default in asdict(SeekerConfig()).items():
            self.declare_parameter(name, list(default) if isinstance(default, tuple) else default)

        # Топики
        self.declare_parameter('blobs_topic', '/blobs')
        self.declare_parameter('depth_topic', '/camera/depth/image_raw')
        self.declare_parameter('bumper_topic', '/bumper')
        self.declare_parameter('cmd_vel_topic', '/cmd_vel')
        self.declare_parameter('reached_topic', '/goal_seeker/reached')

        # Неверная конфигурация - единственная фатальная ошибка (ConfigError уходит в main)
        values = {name: self.get_parameter(name).value for name in asdict(SeekerConfig())}
        self.config = SeekerConfig.from_mapping(values)

        # Обработчики восприятия и общий снимок
        self.mailbox = PerceptionMailbox()
        self.estimator = BlobCentroidEstimator(self.config)
        self.sampler = ObstacleFieldSampler(self.config)
        self.bumper = BumperMonitor()
        self.watchdog = SensorWatchdog(('blobs', 'depth'), self.config.sensor_timeout, time.monotonic())

        # Автомат поведения и исполнитель манёвров
        primitives = MotionPrimitives(self.config)
        self.arbiter = BehaviorArbiter(self.config, primitives)
        self.runner = ManeuverRunner(primitives, self.config.maneuver_rate)

        # Мост для конвертации кадров глубины
        self.bridge = CvBridge()

        self.sensor_group = ReentrantCallbackGroup()
        self.control_group = MutuallyExclusiveCallbackGroup()

        # Подписки на сенсоры
        self.sub_blobs = self.create_subscription(
            Float32MultiArray, self.get_parameter('blobs_topic').value, self.cb_blobs, 50,
            callback_group=self.sensor_group)
        self.sub_depth = self.create_subscription(
            Image, self.get_parameter('depth_topic').value, self.cb_depth, 1,
            callback_group=self.sensor_group)
        self.sub_bumper = self.create_subscription(
            Bool, self.get_parameter('bumper_topic').value, self.cb_bumper, 10,
            callback_group=self.sensor_group)

        # Издатель команд скорости и сигнал достижения цели
        self.publisher_cmd_vel_ = self.create_publisher(
            Twist, self.get_parameter('cmd_vel_topic').value, 10)
        self.pub_reached = self.create_publisher(
            String, self.get_parameter('reached_topic').value, 10)

        # Главный цикл управления
        self.timer = self.create_timer(
            1.0 / self.config.tick_rate, self.loop, callback_group=self.control_group)

        self.get_logger().info(f"Goal seeker started, target color {self.config.target_color}")

    def cb_blobs(self, msg):
        try:
            frame = blob_frame_from_msg(msg)
        except MalformedFrame as e:
            self.get_logger().warn(f"Dropping blob frame: {e}")
            return
        self.watchdog.mark('blobs', time.monotonic())
        self.mailbox.publish(lambda s: self.estimator.update(s, frame))

    def cb_depth(self, msg):
        try:
            cv_image = self.bridge.imgmsg_to_cv2(msg, desired_encoding=msg.encoding)
        except Exception as e:
            self.get_logger().warn(f"Depth CvBridge error: {e}")
            return

        # Полный проход по области интереса - вне блокировки снимка
        try:
            near_count = self.sampler.count_near(depth_from_image(cv_image, msg.encoding))
        except MalformedFrame as e:
            self.get_logger().warn(f"Dropping depth frame: {e}")
            return
        self.watchdog.mark('depth', time.monotonic())
        self.mailbox.publish(lambda s: self.sampler.update(s, near_count))

    def cb_bumper(self, msg):
        event = bumper_event_from_flag(bool(msg.data))
        self.mailbox.publish(lambda s: self.bumper.update(s, event))

    def loop(self):
        snapshot = self.mailbox.snapshot()

        missing, silent = self.watchdog.report(time.monotonic())
        if not self.arbiter.finished:
            if missing:
                self.get_logger().warn(
                    f"Still waiting for first {', '.join(missing)} frame", throttle_duration_sec=5.0)
            if silent:
                self.get_logger().warn(
                    f"No data from {', '.join(silent)} for {self.config.sensor_timeout:.1f}s, "
                    f"using last snapshot", throttle_duration_sec=5.0)

        previous = self.arbiter.state
        decision = self.arbiter.tick(snapshot)

        if decision.state is not previous:
            self.get_logger().info(
                f"state: {previous.value} -> {decision.state.value} "
                f"(goal={snapshot.goal_found}, obstacle={snapshot.obstacle_found}, "
                f"bumper={snapshot.bumper_contact}, area={snapshot.goal_area:.0f})")
            if decision.state is ControllerState.REACHED:
                self.finish()

        if decision.command is not None:
            self.send(decision.command)

        if decision.maneuver is not None:
            self.get_logger().info(
                f"Running maneuver {decision.maneuver.name} for {decision.maneuver.duration:.1f}s")
            self.runner.run(decision.maneuver, self.send)

    def send(self, cmd):
        msg = Twist()
        msg.linear.x = float(cmd.linear_x)
        msg.linear.y = 0.0
        msg.linear.z = 0.0

        msg.angular.x = 0.0
        msg.angular.y = 0.0
        msg.angular.z = float(cmd.angular_z)

        # Ошибка отправки не должна влиять на состояние автомата
        try:
            self.publisher_cmd_vel_.publish(msg)
        except Exception as e:
            self.get_logger().error(f"Failed to publish velocity command: {e}")

    def finish(self):
        msg = String()
        msg.data = "goal reached"
        try:
            self.pub_reached.publish(msg)
        except Exception as e:
            self.get_logger().error(f"Failed to announce goal: {e}")
        self.get_logger().info("Goal reached, holding position")


def main(args=None):
    rclpy.init(args=args)
    try:
        controller = GoalSeekerController()
    except ConfigError as e:
        rclpy.logging.get_logger('goal_seeker').fatal(f"Invalid configuration: {e}")
        rclpy.shutdown()
        raise SystemExit(1)

    executor = MultiThreadedExecutor()
    executor.add_node(controller)
    try:
        executor.spin()
    except KeyboardInterrupt:
        pass
    controller.destroy_node()
    rclpy.shutdown()

if __name__ == '__main__':
    main()
