import argparse
import logging

import cv2

from yolox_kit import DetectorConfig, draw_labeled_boxes, load_detector, load_detector_config, model_from_list


def main() -> int:
    parser = argparse.ArgumentParser(description="Run YOLOX detection on an image, video or webcam and draw labeled boxes.")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--image", default=None, help="Path to an input image.")
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")
    model = parser.add_mutually_exclusive_group(required=True)
    model.add_argument("--model", default=None, help="Path to a YOLOX .onnx model.")
    model.add_argument("--models-json", default=None, help='Model list JSON ({"models": [...]}); the first entry is used.')
    parser.add_argument("--colormap", required=True, help="Colormap JSON with one {label, color} item per class.")
    parser.add_argument("--profile", default=None, help="Optional detector profile JSON (overrides the flags below).")
    parser.add_argument("--target-dim", type=int, default=224, help="Shorter-side size of the model input.")
    parser.add_argument("--conf", type=float, default=0.5, help="Confidence threshold.")
    parser.add_argument("--nms", type=float, default=0.45, help="IoU threshold for NMS.")
    parser.add_argument("--normalize", action="store_true", help="Standardize the input with ImageNet mean/std.")
    parser.add_argument("--channels-first", action="store_true", help="Feed the model NCHW instead of NHWC.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--mirror", action="store_true", help="Mirror the display horizontally.")
    parser.add_argument("--show", action="store_true", help="Show a window with visualized detections.")
    parser.add_argument("--out", default=None, help="Optional output path (image or video) to save the visualization.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = no limit).")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...).")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.max_frames < 0:
        raise ValueError("--max-frames must be >= 0")

    if args.profile:
        cfg = load_detector_config(args.profile)
    else:
        cfg = DetectorConfig(
            target_dim=int(args.target_dim),
            confidence_threshold=float(args.conf),
            nms_threshold=float(args.nms),
            normalize_input=bool(args.normalize),
        )

    model_path = args.model
    if model_path is None:
        entry, model_path = model_from_list(args.models_json)
        logging.getLogger(__name__).info("Using model %s (%s)", entry.name, model_path)

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    detector = load_detector(
        model_path,
        args.colormap,
        cfg=cfg,
        onnx_providers=onnx_providers,
        channels_first=bool(args.channels_first),
    )

    if args.image is not None:
        img = cv2.imread(args.image)
        if img is None:
            raise FileNotFoundError(f"Could not read image at path: {args.image}")

        result = detector(cv2.cvtColor(img, cv2.COLOR_BGR2RGB), mirrored=bool(args.mirror))
        if args.mirror:
            img = cv2.flip(img, 1)
        vis = draw_labeled_boxes(img, result.boxes)
        if args.out:
            ok = cv2.imwrite(args.out, vis)
            if not ok:
                raise RuntimeError(f"Failed to write output image: {args.out}")

        if args.show:
            cv2.imshow("detections", vis)
            cv2.waitKey(0)
            cv2.destroyAllWindows()

        print(f"Objects: {result.count}")
        for lb in result.boxes:
            print(lb.label, round(lb.bbox.score, 3), lb.bbox.as_xyxy())
        return 0

    if args.video is not None:
        cap = cv2.VideoCapture(args.video)
        if not cap.isOpened():
            raise FileNotFoundError(f"Could not open video: {args.video}")
    else:
        cap = cv2.VideoCapture(int(args.webcam))
        if not cap.isOpened():
            raise RuntimeError(f"Could not open webcam index: {args.webcam}")

    writer = None
    processed = 0

    try:
        while True:
            ok, frame = cap.read()
            if not ok or frame is None:
                break

            result = detector(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB), mirrored=bool(args.mirror))
            if args.mirror:
                frame = cv2.flip(frame, 1)
            vis = draw_labeled_boxes(frame, result.boxes)
            cv2.putText(vis, f"Objects: {result.count}", (8, 20), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 255, 0), 1)

            if args.out and writer is None:
                fps = cap.get(cv2.CAP_PROP_FPS)
                if fps is None or fps <= 0:
                    fps = 30.0
                h, w = vis.shape[:2]
                fourcc = cv2.VideoWriter_fourcc(*"mp4v")
                writer = cv2.VideoWriter(args.out, fourcc, fps, (w, h))
                if not writer.isOpened():
                    raise RuntimeError(f"Failed to open video writer: {args.out}")

            if writer is not None:
                writer.write(vis)

            if args.show:
                cv2.imshow("detections", vis)
                key = cv2.waitKey(1) & 0xFF
                if key in (27, ord("q")):
                    break

            processed += 1
            if args.max_frames and processed >= args.max_frames:
                break

    finally:
        cap.release()
        if writer is not None:
            writer.release()
        if args.show:
            cv2.destroyAllWindows()

    print(f"Processed {processed} frames")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
